from app.models.chromebook import Chromebook, ChromebookStatus
from app.models.audit import InventoryAudit, AuditItem, AuditStatus, ScanMethod

__all__ = ["Chromebook", "ChromebookStatus", "InventoryAudit", "AuditItem", "AuditStatus", "ScanMethod"]
