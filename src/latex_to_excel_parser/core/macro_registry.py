"""
Macro Registry - YAML-backed tables of LaTeX macros.

Loads variable macros, decorator macros, known constants and macro argument
signatures from latex_macros.yaml. Shared by the markup parser (argument
signatures) and the variable extractor (variable/decorator/constant policy).
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_MACROS_PATH = Path(__file__).parent.parent / "config" / "latex_macros.yaml"


class MacroRegistry(BaseModel):
    """Central registry of LaTeX macro categories."""

    variable_macros: Set[str] = Field(default_factory=set)
    accent_decorators: Set[str] = Field(default_factory=set)
    font_decorators: Set[str] = Field(default_factory=set)
    known_constants: Set[str] = Field(default_factory=set)
    text_mode_macros: Set[str] = Field(default_factory=set)
    macro_signatures: Dict[str, str] = Field(default_factory=dict)

    def is_variable_macro(self, name: str) -> bool:
        """Check if a macro name denotes a variable base (Greek letters)."""
        return name in self.variable_macros

    def is_decorator(self, name: str) -> bool:
        """Check if a macro wraps its argument into a new variable base."""
        return name in self.accent_decorators or name in self.font_decorators

    def is_constant(self, identity: str) -> bool:
        return identity in self.known_constants

    def is_text_mode(self, name: str) -> bool:
        return name in self.text_mode_macros

    def signature_for(self, name: str) -> List[str]:
        """
        Get the argument specifiers for a macro.

        Returns:
            List of "m" (mandatory group), "o" (optional brackets) or
            "d" (delimiter) entries, empty for macros without arguments.
        """
        if name in self.macro_signatures:
            return self.macro_signatures[name].split()
        if self.is_decorator(name) or self.is_text_mode(name):
            return ["m"]
        return []

    def with_constants(self, *constants: str) -> "MacroRegistry":
        """Return a copy that also treats the given identities as constants."""
        return self.model_copy(
            update={"known_constants": self.known_constants | set(constants)}
        )


def _flatten(section: Union[Dict[str, Any], Iterable[str], None]) -> Set[str]:
    """Flatten a YAML section that is either a list or a dict of lists."""
    if not section:
        return set()
    if isinstance(section, dict):
        names: Set[str] = set()
        for group in section.values():
            names.update(str(name) for name in group or [])
        return names
    return {str(name) for name in section}


def load_macro_registry(path: Optional[Union[str, Path]] = None) -> MacroRegistry:
    """
    Load a macro registry from YAML.

    Args:
        path: Path to a macros YAML file. Defaults to the packaged latex_macros.yaml.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    config_path = Path(path) if path is not None else DEFAULT_MACROS_PATH
    if not config_path.exists():
        logger.error(f"Macro config file not found: {config_path}")
        raise FileNotFoundError(f"Macro config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    decorators = config.get("decorator_macros") or {}
    if not isinstance(decorators, dict):
        # A flat list is read as accents
        decorators = {"accents": decorators}
    registry = MacroRegistry(
        variable_macros=_flatten(config.get("variable_macros")),
        accent_decorators=_flatten(decorators.get("accents")),
        font_decorators=_flatten(decorators.get("fonts")),
        known_constants=_flatten(config.get("known_constants")),
        text_mode_macros=_flatten(config.get("text_mode_macros")),
        macro_signatures={
            str(name): str(spec)
            for name, spec in (config.get("macro_signatures") or {}).items()
        },
    )

    logger.debug(
        f"Loaded macro registry from {config_path}: "
        f"{len(registry.variable_macros)} variable macros, "
        f"{len(registry.accent_decorators) + len(registry.font_decorators)} decorators"
    )
    return registry


@lru_cache(maxsize=1)
def get_default_macro_registry() -> MacroRegistry:
    """Packaged macro registry, loaded once."""
    return load_macro_registry()


__all__ = [
    "MacroRegistry",
    "load_macro_registry",
    "get_default_macro_registry",
    "DEFAULT_MACROS_PATH",
]
