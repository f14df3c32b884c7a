"""Configuration management for vote processor service."""

import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Configuration class for vote processor."""

    # RabbitMQ Configuration
    RABBITMQ_HOST = os.getenv('RABBITMQ_HOST', 'localhost')
    RABBITMQ_PORT = int(os.getenv('RABBITMQ_PORT', '5672'))
    RABBITMQ_USER = os.getenv('RABBITMQ_USER', 'guest')
    RABBITMQ_PASSWORD = os.getenv('RABBITMQ_PASSWORD', 'guest')
    RABBITMQ_VHOST = os.getenv('RABBITMQ_VHOST', '/')

    # Channel and queue group
    VOTE_EXCHANGE = os.getenv('VOTE_EXCHANGE', 'votes')
    VOTE_CHANNEL = os.getenv('VOTE_CHANNEL', 'create-vote')
    CLIENT_ID = os.getenv('CLIENT_ID', 'vote-processor')
    DURABLE_ID = os.getenv('DURABLE_ID', 'store-durable')
    QUEUE_GROUP = os.getenv('QUEUE_GROUP', 'vote-processor-q')

    # PostgreSQL Configuration
    POSTGRES_HOST = os.getenv('POSTGRES_HOST', 'localhost')
    POSTGRES_PORT = int(os.getenv('POSTGRES_PORT', '5432'))
    POSTGRES_DB = os.getenv('POSTGRES_DB', 'elections')
    POSTGRES_USER = os.getenv('POSTGRES_USER', 'election_user')
    POSTGRES_PASSWORD = os.getenv('POSTGRES_PASSWORD', 'election_pass')
    POSTGRES_MIN_POOL_SIZE = int(os.getenv('POSTGRES_MIN_POOL_SIZE', '1'))
    POSTGRES_MAX_POOL_SIZE = int(os.getenv('POSTGRES_MAX_POOL_SIZE', '4'))
    STORE_TIMEOUT = float(os.getenv('STORE_TIMEOUT', '10'))
    VOTE_COLLECTION = os.getenv('VOTE_COLLECTION', 'vote')

    # Election service
    ELECTION_SERVICE = os.getenv('ELECTION_SERVICE', 'http://localhost:9223')
    VALIDATION_TIMEOUT = float(os.getenv('VALIDATION_TIMEOUT', '5'))

    # Prometheus Metrics
    METRICS_PORT = int(os.getenv('METRICS_PORT', '8001'))

    # Worker Configuration
    PREFETCH_COUNT = int(os.getenv('PREFETCH_COUNT', '10'))
    MAX_PAYLOAD_BYTES = int(os.getenv('MAX_PAYLOAD_BYTES', '4096'))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Connection retries at startup
    CONNECT_RETRIES = int(os.getenv('CONNECT_RETRIES', '5'))
    CONNECT_RETRY_DELAY = int(os.getenv('CONNECT_RETRY_DELAY', '5'))

    @classmethod
    def get_postgres_dsn(cls):
        """Get PostgreSQL connection DSN."""
        return f"host={cls.POSTGRES_HOST} port={cls.POSTGRES_PORT} dbname={cls.POSTGRES_DB} user={cls.POSTGRES_USER} password={cls.POSTGRES_PASSWORD}"
