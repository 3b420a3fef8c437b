"""Security helpers for the job API."""

from .api_keys import JobOperation, Role, allows, get_current_role

__all__ = ["JobOperation", "Role", "allows", "get_current_role"]
