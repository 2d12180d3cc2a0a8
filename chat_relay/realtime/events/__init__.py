"""Realtime publishers callable from sync Django code.

These modules should contain *publish* helpers only. They must not define
Socket.IO server instances or connection handlers.
"""
