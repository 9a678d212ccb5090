import json
import logging

import pika
import pika.exceptions

logger = logging.getLogger(__name__)


class RabbitMQProducer:
    """
    Publishes domain events to a RabbitMQ topic exchange.

    A connection is opened per publish and closed right after, so a broker
    that goes away between requests costs nothing but a failed publish.
    """

    def __init__(self, host, exchange_name="events", exchange_type="topic"):
        self.host = host
        self.exchange_name = exchange_name
        self.exchange_type = exchange_type

    def _connect(self):
        credentials = pika.PlainCredentials('guest', 'guest')
        parameters = pika.ConnectionParameters(
            host=self.host,
            credentials=credentials,
            heartbeat=600,
            blocked_connection_timeout=300,
        )
        connection = pika.BlockingConnection(parameters)
        channel = connection.channel()
        # Declare the exchange (durable ensures it survives restarts)
        channel.exchange_declare(exchange=self.exchange_name, exchange_type=self.exchange_type, durable=True)
        return connection, channel

    def publish(self, routing_key, message):
        """
        Publishes a message to the exchange with a specific routing key.

        Args:
            routing_key (str): The topic key (e.g., 'order.confirmed').
            message (dict): The data payload to send.

        Returns True when the broker accepted the message. Failures are
        logged, never raised: the caller has already committed its work.
        """
        connection = None
        try:
            connection, channel = self._connect()
            channel.basic_publish(
                exchange=self.exchange_name,
                routing_key=routing_key,
                body=json.dumps(message),
                properties=pika.BasicProperties(
                    delivery_mode=2,  # Make message persistent
                    content_type='application/json'
                )
            )
            logger.info("Sent event '%s': %s", routing_key, message)
            return True
        except pika.exceptions.AMQPError as e:
            logger.error("Failed to publish event '%s': %s", routing_key, e)
            return False
        finally:
            if connection is not None and connection.is_open:
                connection.close()


class NullProducer:
    """Stands in for the broker when no RABBITMQ_HOST is configured."""

    def publish(self, routing_key, message):
        logger.debug("Event publishing disabled, dropped '%s'", routing_key)
        return False


def build_producer(settings):
    if settings.rabbitmq_host:
        return RabbitMQProducer(settings.rabbitmq_host, exchange_name=settings.events_exchange)
    return NullProducer()
