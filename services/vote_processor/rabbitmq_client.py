"""RabbitMQ client for the vote processor."""

import pika
import logging
import time
from typing import Callable
from .config import Config

logger = logging.getLogger(__name__)


class RabbitMQClient:
    """RabbitMQ client for queue-group consumption of vote messages."""

    def __init__(self):
        """Initialize RabbitMQ client."""
        self.connection = None
        self.channel = None
        self.consuming = False
        self._connect()

    def _connect(self):
        """Establish connection to RabbitMQ."""
        max_retries = Config.CONNECT_RETRIES
        retry_delay = Config.CONNECT_RETRY_DELAY

        for attempt in range(max_retries):
            try:
                parameters = pika.ConnectionParameters(
                    host=Config.RABBITMQ_HOST,
                    port=Config.RABBITMQ_PORT,
                    virtual_host=Config.RABBITMQ_VHOST,
                    credentials=pika.PlainCredentials(
                        Config.RABBITMQ_USER,
                        Config.RABBITMQ_PASSWORD
                    ),
                    client_properties={'connection_name': Config.CLIENT_ID},
                    heartbeat=60,
                    blocked_connection_timeout=300,
                    connection_attempts=3,
                    retry_delay=2
                )

                self.connection = pika.BlockingConnection(parameters)
                self.channel = self.connection.channel()

                # Set QoS - prefetch count
                self.channel.basic_qos(prefetch_count=Config.PREFETCH_COUNT)

                self.channel.exchange_declare(
                    exchange=Config.VOTE_EXCHANGE,
                    exchange_type='topic',
                    durable=True
                )

                logger.info("RabbitMQ connection established successfully")
                return

            except pika.exceptions.AMQPConnectionError as e:
                logger.warning(f"Connection attempt {attempt + 1}/{max_retries} failed: {e}")
                if attempt < max_retries - 1:
                    time.sleep(retry_delay)
                else:
                    logger.error("Failed to connect to RabbitMQ after all retries")
                    raise

    def declare_group_queue(self, channel_name: str, queue_group: str, durable_name: str) -> str:
        """
        Declare the durable queue backing a queue group and bind it to a channel.

        Every subscriber using the same group and durable name shares the
        queue, so each message is delivered to one of them.

        Returns:
            Name of the declared queue
        """
        queue = f"{queue_group}.{durable_name}"
        self.channel.queue_declare(queue=queue, durable=True)
        self.channel.queue_bind(
            queue=queue,
            exchange=Config.VOTE_EXCHANGE,
            routing_key=channel_name
        )
        logger.debug(f"Queue declared: {queue} bound to {channel_name}")
        return queue

    def queue_subscribe(
        self,
        channel_name: str,
        queue_group: str,
        callback: Callable,
        durable_name: str
    ):
        """
        Consume a channel as a member of a queue group. Blocks until stopped.

        Args:
            channel_name: Channel (routing key) to subscribe to
            queue_group: Name of the consumer group
            callback: pika callback (channel, method, properties, body)
            durable_name: Durable subscription identity
        """
        try:
            queue = self.declare_group_queue(channel_name, queue_group, durable_name)
            self.consuming = True
            logger.info(f"Starting to consume from queue: {queue}")

            self.channel.basic_consume(
                queue=queue,
                on_message_callback=callback,
                auto_ack=False
            )

            self.channel.start_consuming()

        except KeyboardInterrupt:
            logger.info("Consumption interrupted by user")
            self.stop_consuming()
        except Exception as e:
            logger.error(f"Error during consumption: {e}")
            raise

    def stop_consuming(self):
        """Stop consuming messages."""
        if self.consuming and self.channel:
            logger.info("Stopping message consumption")
            self.channel.stop_consuming()
            self.consuming = False

    def ack(self, delivery_tag: int):
        """
        Acknowledge a message.

        Args:
            delivery_tag: Message delivery tag
        """
        try:
            self.channel.basic_ack(delivery_tag=delivery_tag)
            logger.debug(f"Message acknowledged: {delivery_tag}")
        except Exception as e:
            logger.error(f"Error acknowledging message: {e}")
            raise

    def close(self):
        """Close RabbitMQ connection."""
        try:
            if self.consuming:
                self.stop_consuming()

            if self.connection and not self.connection.is_closed:
                self.connection.close()
                logger.info("RabbitMQ connection closed")
        except Exception as e:
            logger.error(f"Error closing RabbitMQ connection: {e}")
