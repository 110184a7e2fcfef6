"""Ports and exceptions shared by every layer."""
