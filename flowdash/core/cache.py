"""
Caching utilities for the flow metrics dashboard.
Thin wrappers over Streamlit's data cache.
"""

import streamlit as st


def clear_all_caches() -> None:
    """
    Clear all Streamlit data caches.
    Call this after a sync so pages pick up the new snapshot.
    """
    st.cache_data.clear()


def cached_data_loader(ttl_seconds: int = 300):
    """
    Decorator factory for cached data loading functions.

    Usage:
        @cached_data_loader(ttl_seconds=60)
        def load_snapshots(store_ids: tuple):
            return expensive_operation()
    """
    def decorator(func):
        return st.cache_data(ttl=ttl_seconds, show_spinner=False)(func)

    return decorator
