"""Critical-field rules shared by processing and confirmation.

A record missing any of these is kept in ``needs_review``. Values are given
with canonical record keys (``area``, ``role``); both string and list forms
of ``preferred_areas`` are accepted.
"""

from typing import Any, List, Mapping


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (list, tuple, set)):
        return any(_present(v) for v in value)
    return bool(str(value).strip())


def missing_critical_fields(intake_type: str, values: Mapping[str, Any]) -> List[str]:
    """Return the critical fields absent from ``values``.

    Args:
        intake_type: ``sale``, ``rent``, ``buyer``, ``client`` or ``other``
        values: Record values keyed by canonical field name

    Returns:
        Subset of ``price``, ``location_area``, ``budget``,
        ``preferred_areas``, ``name_or_phone``, ``client_type``
    """
    missing: List[str] = []

    if intake_type in ("sale", "rent"):
        if not _present(values.get("price")):
            missing.append("price")
        if not _present(values.get("area")) and not _present(values.get("compound")):
            missing.append("location_area")
    elif intake_type == "buyer":
        if not _present(values.get("budget_min")) and not _present(values.get("budget_max")):
            missing.append("budget")
        if not _present(values.get("preferred_areas")):
            missing.append("preferred_areas")
    elif intake_type == "client":
        if not _present(values.get("name")) and not _present(values.get("phone")):
            missing.append("name_or_phone")
        if not _present(values.get("role")):
            missing.append("client_type")

    return missing
