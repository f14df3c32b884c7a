"""RabbitMQ publisher for vote events."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import aio_pika
from aio_pika import connect_robust, Message, DeliveryMode
from aio_pika.pool import Pool

from .config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class RabbitMQPublisher:
    """Async RabbitMQ publisher with connection pooling."""

    def __init__(self, settings: Settings = None):
        self.settings = settings or default_settings
        self.connection_pool: Optional[Pool] = None
        self.channel_pool: Optional[Pool] = None
        self.exchange: Optional[aio_pika.Exchange] = None

    async def get_connection(self) -> aio_pika.RobustConnection:
        """Open a new robust connection for the pool."""
        return await connect_robust(
            self.settings.rabbitmq_url,
            client_properties={"connection_name": self.settings.CLIENT_ID}
        )

    async def get_channel(self) -> aio_pika.Channel:
        """Open a new channel on a pooled connection."""
        async with self.connection_pool.acquire() as connection:
            return await connection.channel()

    async def initialize(self):
        """Initialize connection and channel pools."""
        try:
            self.connection_pool = Pool(
                self.get_connection,
                max_size=self.settings.RABBITMQ_POOL_SIZE
            )
            self.channel_pool = Pool(
                self.get_channel,
                max_size=self.settings.RABBITMQ_POOL_SIZE
            )

            async with self.channel_pool.acquire() as channel:
                self.exchange = await channel.declare_exchange(
                    self.settings.VOTE_EXCHANGE,
                    aio_pika.ExchangeType.TOPIC,
                    durable=True
                )

            logger.info("RabbitMQ publisher initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize RabbitMQ publisher: {e}")
            raise

    async def _publish(self, channel_name: str, body: bytes):
        async with self.channel_pool.acquire() as channel:
            exchange = await channel.get_exchange(self.settings.VOTE_EXCHANGE)

            message = Message(
                body=body,
                delivery_mode=DeliveryMode.PERSISTENT,
                content_type="application/json",
                timestamp=datetime.now(timezone.utc)
            )

            await exchange.publish(message, routing_key=channel_name)

    async def publish(self, channel_name: str, body: bytes) -> bool:
        """
        Publish a message on a channel.

        Args:
            channel_name: Channel (routing key) to publish on
            body: Encoded message

        Returns:
            bool: True if published successfully, False otherwise
        """
        if self.channel_pool is None:
            logger.error("RabbitMQ publisher is not initialized")
            return False

        try:
            await asyncio.wait_for(
                self._publish(channel_name, body),
                timeout=self.settings.PUBLISH_TIMEOUT
            )
            logger.debug(f"Published {len(body)} bytes to {channel_name}")
            return True

        except asyncio.TimeoutError:
            logger.error(
                f"Timed out publishing to {channel_name} after {self.settings.PUBLISH_TIMEOUT}s"
            )
            return False
        except Exception as e:
            logger.error(f"Failed to publish to {channel_name}: {e}")
            return False

    async def check_health(self) -> bool:
        """
        Check RabbitMQ connection health.

        Returns:
            bool: True if healthy, False otherwise
        """
        if self.channel_pool is None:
            return False
        try:
            async with self.channel_pool.acquire() as channel:
                await channel.get_exchange(self.settings.VOTE_EXCHANGE)
                return True
        except Exception as e:
            logger.error(f"RabbitMQ health check failed: {e}")
            return False

    async def close(self):
        """Close all connections and channels."""
        try:
            if self.channel_pool:
                await self.channel_pool.close()
            if self.connection_pool:
                await self.connection_pool.close()
            logger.info("RabbitMQ publisher closed successfully")
        except Exception as e:
            logger.error(f"Error closing RabbitMQ publisher: {e}")
