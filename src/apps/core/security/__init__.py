"""Security module with policy enforcement decorators and adapters."""

from apps.core.security.querysets import apply_scope, filter_to_q
from apps.core.security.rbac import require_policy

__all__ = ["require_policy", "filter_to_q", "apply_scope"]
