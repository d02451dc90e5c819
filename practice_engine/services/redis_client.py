from __future__ import annotations

import redis.asyncio as redis


def create_redis(dsn: str, max_connections: int = 8) -> "redis.Redis":
    # one engine process, a handful of concurrent persistence writes
    return redis.from_url(
        dsn,
        decode_responses=False,
        max_connections=max_connections,
        socket_connect_timeout=5,
        health_check_interval=30,
        retry_on_timeout=True,
    )
