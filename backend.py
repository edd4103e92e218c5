import asyncio
import json
import time
from typing import Any, Optional

import redis

from constants import REDIS_URL
from logging_config import get_logger
from redis_keys import REDIS_COMMAND_CHANNEL
from relay import ChannelRelay

logger = get_logger(__name__)


class RedisBackend:
    """Redis pub/sub side channel for broadcast commands.

    Producers call ``publish_command``; the relay process runs
    ``listen_for_commands`` and fans each command out to its local sockets.
    """

    def __init__(self, redis_client: redis.Redis, channel: str = REDIS_COMMAND_CHANNEL):
        self.redis_client = redis_client
        self.channel = channel

    @classmethod
    def from_url(cls, url: str = REDIS_URL, channel: str = REDIS_COMMAND_CHANNEL) -> "RedisBackend":
        client = redis.Redis.from_url(url, decode_responses=True)
        try:
            client.ping()
            logger.info(f"Redis client connected successfully to {url}")
        except Exception as e:
            logger.error(f"Failed to connect to Redis at {url}: {e}", exc_info=True)
            raise
        return cls(client, channel)

    def publish_command(self, room: str, event: str, data: Any = None) -> int:
        """Publish a broadcast command; returns the number of subscribed relays."""
        message_json = json.dumps({"room": room, "event": event, "data": data})
        subscribers = self.redis_client.publish(self.channel, message_json)
        logger.debug(f"Published {event} for room {room} on {self.channel}, {subscribers} subscribers")
        return subscribers

    def subscribe_commands(self):
        logger.debug(f"Subscribing to Redis channel {self.channel}")
        pubsub = self.redis_client.pubsub()
        pubsub.subscribe(self.channel)
        return pubsub

    def close(self) -> None:
        self.redis_client.close()


def apply_command(relay: ChannelRelay, raw: Any) -> int:
    """Broadcast one command message. Malformed commands are logged and skipped."""
    try:
        command = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"Error parsing Redis command: {e}")
        return 0
    if not isinstance(command, dict):
        logger.error(f"Redis command is not an object: {command!r}")
        return 0

    room = command.get("room")
    event = command.get("event")
    if not isinstance(room, str) or not room or not isinstance(event, str) or not event:
        logger.error(f"Redis command missing room or event: {command!r}")
        return 0
    return relay.broadcast(room, event, command.get("data"))


async def listen_for_commands(relay: ChannelRelay, backend: RedisBackend, poll_timeout: float = 1.0) -> None:
    """Background task: read commands from Redis pub/sub until cancelled."""
    logger.info(f"Starting Redis command listener on {backend.channel}")
    pubsub: Optional[Any] = None
    try:
        pubsub = backend.subscribe_commands()
        loop = asyncio.get_running_loop()

        def get_message():
            """Blocking call to get next message from Redis pub/sub with timeout."""
            try:
                return pubsub.get_message(timeout=poll_timeout, ignore_subscribe_messages=True)
            except Exception as e:
                logger.error(f"Error in pubsub.get_message() on {backend.channel}: {e}", exc_info=True)
                time.sleep(poll_timeout)
                return None

        while True:
            message = await loop.run_in_executor(None, get_message)
            if message is None:
                continue
            if message.get("type") == "message":
                apply_command(relay, message.get("data"))

    except asyncio.CancelledError:
        logger.info("Redis command listener cancelled")
        raise
    finally:
        if pubsub is not None:
            try:
                pubsub.close()
                logger.debug(f"Closed pub/sub connection for {backend.channel}")
            except Exception as e:
                logger.error(f"Error closing pub/sub for {backend.channel}: {e}")
