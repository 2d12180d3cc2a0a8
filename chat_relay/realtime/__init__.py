"""Realtime relay (Socket.IO).

The connection registry, presence broadcaster and relay gateway live here;
``chat_relay.realtime.socketio`` wires one of each to the process-wide
Socket.IO server.
"""
