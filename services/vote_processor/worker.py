"""
Main vote processor service.

Consumes vote messages as a member of a queue group and, for each one:

1. Decodes the vote; undecodable or malformed votes are dropped.
2. Asks the election service whether the election is open and the candidate
   is on the ballot; unreachable service or any non-200 answer drops the vote.
3. Appends the vote to the vote collection.

Every message is acknowledged once handled, whatever the outcome. Nothing is
retried locally; the bus only redelivers messages that were never
acknowledged, e.g. when the process dies mid-message. Votes carry no
deduplication key, so a redelivered vote may be stored twice.
"""

import signal
import sys
import logging
import time
from enum import Enum
from prometheus_client import Counter, Histogram, start_http_server

from ..shared.models import Vote
from .config import Config
from .database import DatabaseClient, DatabaseError
from .election_client import ElectionServiceClient, ElectionServiceError
from .rabbitmq_client import RabbitMQClient

logger = logging.getLogger(__name__)

# Prometheus metrics
votes_processed = Counter(
    'vote_processor_votes_processed_total',
    'Total number of vote messages processed',
    ['status']
)

processing_latency = Histogram(
    'vote_processor_latency_seconds',
    'Time spent processing one vote message',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

rejections = Counter(
    'vote_processor_rejections_total',
    'Votes rejected by the election service',
    ['status_code']
)


class VoteStatus(str, Enum):
    """Outcome of processing one vote message."""
    PERSISTED = "persisted"
    INVALID = "invalid"
    UNAVAILABLE = "unavailable"
    REJECTED = "rejected"
    STORE_FAILED = "store_failed"


REJECTION_REASONS = {
    400: "candidate not on the ballot",
    404: "election not found",
    410: "election is over",
}


class VoteProcessor:
    """Queue-group consumer that validates and stores votes."""

    def __init__(self, rabbitmq_client=None, db_client=None, election_client=None):
        """
        Args:
            rabbitmq_client: Bus client; created by initialize_clients when omitted
            db_client: Vote store; created by initialize_clients when omitted
            election_client: Election service client; created when omitted
        """
        self.rabbitmq_client = rabbitmq_client
        self.db_client = db_client
        self.election_client = election_client
        self.shutdown_requested = False

        logger.info(f"Initializing vote processor: {Config.CLIENT_ID}")

    def _handle_shutdown(self, signum, frame):
        """Handle graceful shutdown on SIGTERM/SIGINT."""
        logger.info(f"Shutdown signal received: {signum}")
        self.shutdown_requested = True

        if self.rabbitmq_client:
            self.rabbitmq_client.stop_consuming()

    def initialize_clients(self):
        """Initialize all client connections not supplied by the caller."""
        try:
            if self.election_client is None:
                logger.info(f"Using election service at {Config.ELECTION_SERVICE}")
                self.election_client = ElectionServiceClient()

            if self.db_client is None:
                logger.info("Initializing Database client...")
                self.db_client = DatabaseClient()

            if self.rabbitmq_client is None:
                logger.info("Initializing RabbitMQ client...")
                self.rabbitmq_client = RabbitMQClient()

            logger.info("All clients initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize clients: {e}")
            raise

    def process_vote(self, body: bytes) -> VoteStatus:
        """
        Validate and store a single vote message.

        Args:
            body: Raw message body

        Returns:
            VoteStatus describing what happened to the vote
        """
        if len(body) > Config.MAX_PAYLOAD_BYTES:
            logger.warning(
                f"Oversized payload dropped: {len(body)} bytes (max {Config.MAX_PAYLOAD_BYTES})"
            )
            return VoteStatus.INVALID

        try:
            vote = Vote.from_json(body)
        except (ValueError, UnicodeDecodeError) as e:
            logger.error(f"Failed to process vote: undecodable message: {e}")
            return VoteStatus.INVALID

        is_valid, error = vote.validate()
        if not is_valid:
            logger.error(f"Failed to process vote: {error}")
            return VoteStatus.INVALID

        logger.info(f"Processing vote: election={vote.election_id}, candidate={vote.candidate}")

        try:
            result = self.election_client.validate(vote.election_id, vote.candidate)
        except ElectionServiceError as e:
            logger.error(
                f"Could not validate election {vote.election_id} "
                f"for candidate {vote.candidate}: {e}"
            )
            return VoteStatus.UNAVAILABLE

        if not result.accepted:
            rejections.labels(status_code=str(result.status_code)).inc()
            reason = REJECTION_REASONS.get(result.status_code, result.detail or "unexpected response")
            logger.warning(
                f"Vote dropped: election={vote.election_id}, candidate={vote.candidate}, "
                f"status={result.status_code}, reason={reason}"
            )
            return VoteStatus.REJECTED

        try:
            self.db_client.insert(Config.VOTE_COLLECTION, vote.to_dict())
        except DatabaseError as e:
            logger.error(
                f"Failed to store vote: election={vote.election_id}, "
                f"candidate={vote.candidate}: {e}"
            )
            return VoteStatus.STORE_FAILED

        logger.info(f"Vote processed: election={vote.election_id}, candidate={vote.candidate}")
        return VoteStatus.PERSISTED

    def on_message(self, ch, method, properties, body):
        """
        pika callback for vote messages.

        Args:
            ch: Channel
            method: Method
            properties: Properties
            body: Message body
        """
        start_time = time.time()

        try:
            status = self.process_vote(body)
        except Exception as e:
            logger.error(f"Unexpected error processing vote: {e}", exc_info=True)
            status = None

        votes_processed.labels(status=status.value if status else 'unexpected').inc()
        processing_latency.observe(time.time() - start_time)

        # Handled messages are never redelivered
        self.rabbitmq_client.ack(method.delivery_tag)

    def run(self):
        """Run the vote processor."""
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)

        try:
            self.initialize_clients()

            logger.info(f"Starting Prometheus metrics server on port {Config.METRICS_PORT}")
            start_http_server(Config.METRICS_PORT)

            logger.info(
                f"Subscribing to {Config.VOTE_CHANNEL} as queue group {Config.QUEUE_GROUP} "
                f"(durable {Config.DURABLE_ID})"
            )
            self.rabbitmq_client.queue_subscribe(
                Config.VOTE_CHANNEL,
                Config.QUEUE_GROUP,
                self.on_message,
                durable_name=Config.DURABLE_ID
            )

        except KeyboardInterrupt:
            logger.info("Processor interrupted by user")
        except Exception as e:
            logger.error(f"Processor error: {e}", exc_info=True)
            self.cleanup()
            sys.exit(1)

        self.cleanup()

    def cleanup(self):
        """Cleanup resources on shutdown."""
        logger.info("Cleaning up resources...")

        if self.rabbitmq_client:
            try:
                self.rabbitmq_client.close()
            except Exception as e:
                logger.error(f"Error closing RabbitMQ client: {e}")
            self.rabbitmq_client = None

        if self.election_client:
            try:
                self.election_client.close()
            except Exception as e:
                logger.error(f"Error closing election service client: {e}")
            self.election_client = None

        if self.db_client:
            try:
                self.db_client.close()
            except Exception as e:
                logger.error(f"Error closing database client: {e}")
            self.db_client = None

        logger.info("Cleanup complete. Processor shutting down.")


def main():
    """Main entry point."""
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    logger.info("=" * 60)
    logger.info("Starting Vote Processor Service")
    logger.info(f"Client ID: {Config.CLIENT_ID}")
    logger.info(f"RabbitMQ: {Config.RABBITMQ_HOST}:{Config.RABBITMQ_PORT}")
    logger.info(f"PostgreSQL: {Config.POSTGRES_HOST}:{Config.POSTGRES_PORT}")
    logger.info(f"Election service: {Config.ELECTION_SERVICE}")
    logger.info("=" * 60)

    processor = VoteProcessor()
    processor.run()


if __name__ == '__main__':
    main()
