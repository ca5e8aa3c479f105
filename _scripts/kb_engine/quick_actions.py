"""
InfraKB - Quick Actions v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

One-click actions offered next to providers and servers: console
links, canned assistant prompts and the SSH command.

Prompts refer to servers by name only. The SSH command is the one
field that carries connection details and is meant for local use.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from kb_engine.core.types import ProviderType, ServerConfig


class ActionType(Enum):
    SSH = "ssh"
    AI_PROMPT = "ai_prompt"
    LINK = "link"


@dataclass
class QuickAction:
    """A single actionable shortcut."""
    id: str
    label: str
    type: ActionType
    icon: str
    command: Optional[str] = None
    prompt: Optional[str] = None
    url: Optional[str] = None
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type.value,
            "icon": self.icon,
            "command": self.command,
            "prompt": self.prompt,
            "url": self.url,
            "category": self.category,
        }


def _link(action_id: str, label: str, url: str, icon: str = "🌐",
          category: str = "navigation") -> QuickAction:
    return QuickAction(action_id, label, ActionType.LINK, icon, url=url, category=category)


def _prompt(action_id: str, label: str, prompt: str, icon: str,
            category: str = "monitoring") -> QuickAction:
    return QuickAction(action_id, label, ActionType.AI_PROMPT, icon, prompt=prompt, category=category)


PROVIDER_DEFAULT_ACTIONS: Dict[ProviderType, List[QuickAction]] = {
    ProviderType.AWS: [
        _link("aws-console", "Open AWS Console", "https://console.aws.amazon.com"),
        _link("aws-ec2", "EC2 Dashboard", "https://console.aws.amazon.com/ec2", "🖥️"),
        _prompt("aws-logs", "Check CloudWatch Logs", "Check AWS CloudWatch logs for errors", "📋"),
        _prompt("aws-costs", "Check AWS Costs", "What are my current AWS costs?", "💰", "billing"),
    ],
    ProviderType.DIGITALOCEAN: [
        _link("do-console", "Open DO Console", "https://cloud.digitalocean.com"),
        _link("do-droplets", "Droplets Dashboard", "https://cloud.digitalocean.com/droplets", "💧"),
        _prompt("do-logs", "Check Droplet Logs", "Check DigitalOcean droplet logs", "📋"),
    ],
    ProviderType.CLOUDFLARE: [
        _link("cf-dashboard", "Cloudflare Dashboard", "https://dash.cloudflare.com"),
        _prompt("cf-dns", "DNS Settings", "Show Cloudflare DNS settings", "🔧", "configuration"),
        _prompt("cf-analytics", "Check Analytics", "Show Cloudflare analytics", "📊"),
    ],
    ProviderType.GCP: [
        _link("gcp-console", "GCP Console", "https://console.cloud.google.com"),
        _link("gcp-compute", "Compute Engine", "https://console.cloud.google.com/compute", "🖥️"),
    ],
    ProviderType.AZURE: [
        _link("azure-portal", "Azure Portal", "https://portal.azure.com"),
    ],
    ProviderType.GITHUB: [
        _link("gh-repos", "GitHub Repos", "https://github.com", "🐙"),
        _prompt("gh-actions", "Check Actions", "Check GitHub Actions status", "▶️", "ci"),
    ],
    ProviderType.SENTRY: [
        _link("sentry-issues", "Sentry Issues", "https://sentry.io", "🐛", "monitoring"),
        _prompt("sentry-errors", "Check Errors", "Check Sentry for recent errors", "⚠️"),
    ],
}


def get_default_actions(provider_type: ProviderType) -> List[QuickAction]:
    """Built-in actions for a provider type (may be empty)."""
    return list(PROVIDER_DEFAULT_ACTIONS.get(provider_type, []))


def get_server_actions(server: ServerConfig) -> List[QuickAction]:
    """SSH, logs, status and restart actions for one server."""
    name = server.name or "Server"
    return [
        QuickAction(
            id=f"ssh-{server.id}",
            label=f"SSH to {name}",
            type=ActionType.SSH,
            icon="🔗",
            command=server.ssh_command,
            category="connection",
        ),
        _prompt(f"logs-{server.id}", f"Check {name} Logs",
                f'Connect to the server "{name}" and check the logs for errors', "📋"),
        _prompt(f"status-{server.id}", f"Check {name} Status",
                f'Check the status of the server "{name}": disk space, memory and CPU', "📊"),
        _prompt(f"restart-{server.id}", f"Restart {name} Services",
                f'Connect to the server "{name}" and restart the main services', "🔄", "management"),
    ]


def group_by_category(actions: List[QuickAction]) -> Dict[str, List[QuickAction]]:
    grouped: Dict[str, List[QuickAction]] = {}
    for action in actions:
        grouped.setdefault(action.category or "other", []).append(action)
    return grouped


__all__ = [
    "ActionType",
    "QuickAction",
    "PROVIDER_DEFAULT_ACTIONS",
    "get_default_actions",
    "get_server_actions",
    "group_by_category",
]
