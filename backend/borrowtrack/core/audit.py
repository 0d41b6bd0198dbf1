"""
Audit logging for authentication and inventory-changing operations.

One JSON line per event on the "audit" logger, so it can be shipped
separately from application logs. Passwords and tokens are never logged.
"""
import logging
import json
from datetime import datetime, timezone
from typing import Any, Optional, Dict

audit_logger = logging.getLogger("audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLog:
    """Central audit logging."""

    @staticmethod
    def log_authentication(
        action: str,  # "login", "logout", "register", "failed_login"
        email: str,
        ip_address: str,
        success: bool,
        reason: str = "",
    ):
        """
        Usage:
            AuditLog.log_authentication("login", "user@example.com", "192.168.1.1", True)
            AuditLog.log_authentication("failed_login", "user@example.com", "192.168.1.1", False, reason="Invalid password")
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"auth.{action}",
            "email": email,
            "ip_address": ip_address,
            "success": success,
        }

        if reason and not success:
            log_entry["reason"] = reason

        if success:
            audit_logger.info(json.dumps(log_entry))
        else:
            audit_logger.warning(json.dumps(log_entry))

    @staticmethod
    def log_action(
        action: str,  # "create", "update", "delete", "borrow", "return"
        resource_type: str,  # "inventory_item", "borrow_record", "user", "local_cache"
        resource_id: str,
        actor_email: str,
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Usage:
            AuditLog.log_action("borrow", "borrow_record", "b1715000000123", "user@example.com",
                                changes={"item_id": "t1", "quantity": 2})
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"{resource_type}.{action}",
            "actor_email": actor_email,
            "resource_id": resource_id,
        }

        if changes:
            changes = {k: v for k, v in changes.items() if k != "password"}
            log_entry["changes"] = changes

        audit_logger.info(json.dumps(log_entry, default=str))

    @staticmethod
    def log_access_denied(
        action: str,
        resource_type: str,
        resource_id: str,
        actor_email: str,
        reason: str,
    ):
        """
        Usage:
            AuditLog.log_access_denied("return", "borrow_record", "b17150001", "user@example.com", "Not record owner")
        """
        log_entry = {
            "timestamp": _now(),
            "event_severity": "WARNING",
            "event_type": "access_denied",
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "actor_email": actor_email,
            "reason": reason,
        }

        audit_logger.warning(json.dumps(log_entry))
