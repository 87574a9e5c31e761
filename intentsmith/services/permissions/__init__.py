"""Permission classification service."""

from .service import PermissionClassifier, PermissionTable, load_permission_table

__all__ = ["PermissionClassifier", "PermissionTable", "load_permission_table"]
