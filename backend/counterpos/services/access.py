"""Capability checks. Pure predicates over the current user; admin bypasses every flag."""

from counterpos.schemas.auth import Capability, Permissions, User

CAPABILITY_FIELDS: dict[Capability, str] = {
    Capability.MANAGE_PRODUCTS: "can_manage_products",
    Capability.VIEW_REPORTS: "can_view_reports",
    Capability.MANAGE_PURCHASES: "can_manage_purchases",
    Capability.PROCESS_RETURNS: "can_process_returns",
}


def has_capability(user: User | None, capability: Capability) -> bool:
    if user is None:
        return False
    if user.is_admin:
        return True
    permissions: Permissions = user.effective_permissions
    return getattr(permissions, CAPABILITY_FIELDS[capability])


def granted_capabilities(user: User | None) -> list[Capability]:
    return [capability for capability in Capability if has_capability(user, capability)]
