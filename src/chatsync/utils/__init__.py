"""Utility modules for chatsync."""
