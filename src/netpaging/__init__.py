"""Reactive, lifecycle-aware paging of remote page-indexed list resources."""

__version__ = "0.1.0"
