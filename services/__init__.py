"""
Background Services

- subscriber_registry: connected WebSocket clients and snapshot broadcast
- aggregator: one refresh cycle (fetch, merge, broadcast)
- scheduler: fixed-period refresh driver
"""
