"""Journald log driver that lifts priority, tags and attributes out of semi-structured lines."""
