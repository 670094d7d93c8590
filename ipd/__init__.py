"""IPD application for the portal backend.

This package holds the realtime chat subsystem: the message store, the
access gate shared by HTTP and socket traffic, the room registry and
the chat hub consumer, plus the staff accounts that mint bearer tokens.
"""
