"""Datanode data-plane adapter resource exports."""

from resources.adapters.datanode.adapter import (
    ConnectionHandle,
    ConnectionPool,
    DatanodeAdapter,
)
from resources.adapters.datanode.component import RESOURCE_COMPONENT_ID
from resources.adapters.datanode.config import (
    DatanodeAdapterSettings,
    resolve_datanode_adapter_settings,
)
from resources.adapters.datanode.datanode_adapter import HttpDatanodeAdapter
from resources.adapters.datanode.pool import DatanodeConnectionPool

__all__ = [
    "ConnectionHandle",
    "ConnectionPool",
    "DatanodeAdapter",
    "DatanodeAdapterSettings",
    "DatanodeConnectionPool",
    "HttpDatanodeAdapter",
    "RESOURCE_COMPONENT_ID",
    "resolve_datanode_adapter_settings",
]
