from collections.abc import Callable

# pi5setup/core/registry.py
from pi5setup.core.check import Check, CheckOutcome
from pi5setup.core.preflight import ExecutionContext

CheckFunc = Callable[[ExecutionContext], CheckOutcome]
_CHECK_REGISTRY: dict[str, Check] = {}


def check(check_id: str, description: str, section: str = "") -> Callable[[CheckFunc], CheckFunc]:
    """
    Decorator to register a verification check. Checks run in registration order.
    """

    def _decorator(fn: CheckFunc) -> CheckFunc:
        if check_id in _CHECK_REGISTRY:
            raise RuntimeError(f"Duplicate check id: {check_id}")

        fn._check_id = check_id  # type: ignore[attr-defined]
        _CHECK_REGISTRY[check_id] = Check(check_id, description, fn, section)
        return fn

    return _decorator


def get_check_registry() -> dict[str, Check]:
    return dict(_CHECK_REGISTRY)
