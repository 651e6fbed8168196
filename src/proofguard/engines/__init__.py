"""Engine loading from "module:attribute" factory strings."""

import importlib
from typing import Any

from proofguard.errors import EngineLoadError

REFERENCE_ENGINE = "proofguard.engines.reference:ReferenceEngine"
REFERENCE_ORACLE = "proofguard.engines.reference:ReferenceOracle"


def load_factory(factory_path: str) -> Any:
    """Resolve and call a factory given as "package.module:attribute".

    The attribute may be a class or any zero-argument callable returning the
    engine instance.

    Raises:
        EngineLoadError: if the string is malformed, the module cannot be
            imported, or the attribute is missing or not callable
    """
    module_name, sep, attr_path = factory_path.partition(":")
    if not sep or not module_name or not attr_path:
        raise EngineLoadError(f"Engine factory must look like 'module:attribute', got {factory_path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise EngineLoadError(f"Cannot import engine module '{module_name}': {e}") from e

    target: Any = module
    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError:
            raise EngineLoadError(f"Module '{module_name}' has no attribute '{attr_path}'") from None
    if not callable(target):
        raise EngineLoadError(f"Engine factory '{factory_path}' is not callable")
    return target()
