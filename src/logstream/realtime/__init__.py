"""Real-time log fan-out over WebSockets.

Records flow one way:
1. LogService stores a record, then hands it to the Broadcaster
2. Broadcaster looks up every connection subscribed to record.service
3. BackpressureSender delivers to each, deferring while a socket drains

Everything runs on the event loop thread, so the registry needs no locks.
"""
