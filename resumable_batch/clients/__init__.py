"""Clients for external record services."""

from .records import LoadSubItemProcessor, OuterItem, RecordServiceClient

__all__ = ["LoadSubItemProcessor", "OuterItem", "RecordServiceClient"]
