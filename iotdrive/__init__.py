"""Distributed block device: an NBD master spreading I/O over minion nodes, and its framework."""

__version__ = "0.1.0"