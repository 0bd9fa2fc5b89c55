"""Shared configuration utilities.

Contains helper functions used by the configuration classes: dictionary
merging for overrides and import of objects referenced by dotted path.
"""

import importlib
from typing import Any, Dict


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override dictionary into base dictionary.

    Creates a new dictionary with values from ``base`` updated by ``override``.
    Nested dictionaries are merged recursively rather than replaced wholesale.

    Args:
        base: Base dictionary providing default values.
        override: Override dictionary whose values take precedence.

    Returns:
        New merged dictionary (neither input is mutated).
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def split_reference(reference: str) -> tuple:
    """Split ``"package.module:Name"`` or ``"package.module.Name"`` into its parts.

    Args:
        reference: Dotted reference to a module attribute.

    Returns:
        Tuple of (module path, attribute name).

    Raises:
        ValueError: If the reference does not name a module attribute.
    """
    if ":" in reference:
        module_name, _, attribute = reference.partition(":")
    else:
        module_name, _, attribute = reference.rpartition(".")
    if not module_name or not attribute or not attribute.isidentifier():
        raise ValueError(
            f"Invalid reference: {reference}. Expected 'package.module:Name' or 'package.module.Name'"
        )
    return module_name, attribute


def import_reference(reference: str) -> Any:
    """Import the object a dotted reference points to.

    Args:
        reference: Reference accepted by :func:`split_reference`.

    Returns:
        The referenced object.

    Raises:
        ImportError: If the module or attribute cannot be found.
    """
    module_name, attribute = split_reference(reference)
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attribute)
    except AttributeError as e:
        raise ImportError(f"Module '{module_name}' has no attribute '{attribute}'") from e
