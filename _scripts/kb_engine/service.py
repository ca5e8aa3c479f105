"""
InfraKB - Service Boundary v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Channel dispatcher in front of one KnowledgeBaseManager.

Every call returns the same envelope:
    {"success": true,  "timestamp": "...Z", "data": ...}
    {"success": false, "timestamp": "...Z", "error": {...}}

Errors carry the exception type, technical message, user message and
status code. Unexpected exceptions are logged with a traceback and
reported as a generic 500 so internals never leak to the caller.
"""

import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from kb_engine.core.config import KBConfig
from kb_engine.errors import KBError
from kb_engine.logging_utils import set_call_id
from kb_engine.manager import KnowledgeBaseManager

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


def api_response(data: Any = None, error: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Standard response envelope."""
    response = {
        "success": error is None,
        "timestamp": _timestamp(),
    }
    if data is not None:
        response["data"] = data
    if error is not None:
        response["error"] = error
    return response


def error_payload(error: KBError) -> Dict[str, Any]:
    return {
        "type": type(error).__name__,
        "message": str(error),
        "user_message": error.user_message,
        "status_code": error.status_code,
    }


def to_payload(value: Any) -> Any:
    """Convert records into plain JSON-ready values."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [to_payload(v) for v in value]
    if isinstance(value, dict):
        return {k: to_payload(v) for k, v in value.items()}
    return value


class KnowledgeBaseService:
    """
    Application-lifetime owner of the knowledge base.

    Usage:
        service = KnowledgeBaseService(KBConfig.from_env())
        service.call("kb:addProvider", provider_type="aws")
        service.call("kb:generateAIContext")
        service.shutdown()
    """

    def __init__(self, config: Optional[KBConfig] = None, manager: Optional[KnowledgeBaseManager] = None):
        self.manager = manager or KnowledgeBaseManager(config)
        kb = self.manager

        self._handlers: Dict[str, Callable[..., Any]] = {
            # Lifecycle & locking
            "kb:initialize": kb.initialize,
            "kb:unlock": kb.unlock,
            "kb:lock": kb.lock,
            "kb:isUnlocked": lambda: kb.is_unlocked,
            "kb:verifyPassword": kb.verify_password,
            "kb:rebuildIndex": kb.rebuild_index,
            "kb:search": lambda query: kb.get_index().search(query),
            # Providers
            "kb:getProviders": kb.get_providers,
            "kb:getProvidersByType": kb.get_providers_by_type,
            "kb:getProvider": kb.get_provider,
            "kb:addProvider": kb.add_provider,
            "kb:updateProvider": kb.update_provider,
            "kb:deleteProvider": kb.delete_provider,
            # Servers
            "kb:getServers": kb.get_servers,
            "kb:getServersByProvider": kb.get_servers_by_provider,
            "kb:getServer": kb.get_server,
            "kb:addServer": kb.add_server,
            "kb:updateServer": kb.update_server,
            "kb:deleteServer": kb.delete_server,
            "kb:findServer": kb.find_server_by_name,
            "kb:getSshCommand": kb.get_ssh_command,
            # Credentials
            "kb:addCredential": kb.add_credential,
            "kb:getCredentialValue": kb.get_credential_value,
            "kb:deleteCredential": kb.delete_credential,
            "kb:listCredentials": kb.list_credentials,
            # Documents & context
            "kb:importDocument": kb.import_document,
            "kb:generateAIContext": kb.generate_ai_context,
            "kb:getRelevantContext": kb.get_relevant_context,
            "kb:getQuickActions": kb.get_quick_actions,
            "kb:getQuickActionGroups": kb.get_quick_action_groups,
            # Preferences & stats
            "kb:getPreferences": kb.get_preferences,
            "kb:savePreferences": kb.save_preferences,
            "kb:getStats": kb.get_stats,
        }

    @property
    def channels(self):
        return sorted(self._handlers)

    def call(self, channel: str, **params) -> Dict[str, Any]:
        """Dispatch one channel call and wrap the result."""
        call_id = set_call_id()
        handler = self._handlers.get(channel)
        if handler is None:
            logger.warning(f"Unknown channel {channel}")
            return api_response(error={
                "type": "UnknownChannel",
                "message": f"unknown channel: {channel}",
                "user_message": "That action is not available.",
                "status_code": 404,
            })

        # Parameter values are never logged; they may hold secrets
        logger.debug(f"{channel} [{call_id}] params={sorted(params)}")
        try:
            inspect.signature(handler).bind(**params)
        except TypeError as e:
            logger.warning(f"{channel} called with bad arguments: {e}")
            return api_response(error={
                "type": "ValidationError",
                "message": str(e),
                "user_message": "Invalid arguments for this action.",
                "status_code": 400,
            })

        try:
            result = handler(**params)
        except KBError as e:
            logger.warning(f"{channel} failed: {type(e).__name__} ({e.status_code})")
            return api_response(error=error_payload(e))
        except Exception:
            logger.exception(f"{channel} failed unexpectedly")
            return api_response(error={
                "type": "InternalError",
                "message": "internal error",
                "user_message": "Something went wrong. Check the logs for details.",
                "status_code": 500,
            })

        return api_response(data=to_payload(result))

    def shutdown(self) -> None:
        """Lock storage and zero the key."""
        self.manager.close()
        logger.info("Knowledge base service stopped")


__all__ = ["KnowledgeBaseService", "api_response", "error_payload", "to_payload"]
