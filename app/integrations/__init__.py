"""External integration adapters."""

from .etcd import EtcdClient

__all__ = [
    "EtcdClient",
]
