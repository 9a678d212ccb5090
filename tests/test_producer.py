import json
from unittest.mock import patch

import pika.exceptions

from shop_service.app.config import load_settings
from shop_service.app.messaging.producer import NullProducer, RabbitMQProducer, build_producer


class TestBuildProducer:
    def test_disabled_without_host(self, monkeypatch):
        monkeypatch.delenv("RABBITMQ_HOST", raising=False)
        assert isinstance(build_producer(load_settings()), NullProducer)

    def test_rabbitmq_when_host_set(self, monkeypatch):
        monkeypatch.setenv("RABBITMQ_HOST", "broker.local")
        monkeypatch.setenv("EVENTS_EXCHANGE", "shop")
        producer = build_producer(load_settings())
        assert isinstance(producer, RabbitMQProducer)
        assert producer.host == "broker.local"
        assert producer.exchange_name == "shop"


class TestRabbitMQProducer:
    @patch("shop_service.app.messaging.producer.pika.BlockingConnection")
    def test_publishes_persistent_json(self, connection_cls):
        connection = connection_cls.return_value
        channel = connection.channel.return_value

        ok = RabbitMQProducer("broker.local").publish("order.confirmed", {"order_id": 1})

        assert ok is True
        channel.exchange_declare.assert_called_once_with(exchange="events", exchange_type="topic", durable=True)
        kwargs = channel.basic_publish.call_args.kwargs
        assert kwargs["exchange"] == "events"
        assert kwargs["routing_key"] == "order.confirmed"
        assert json.loads(kwargs["body"]) == {"order_id": 1}
        assert kwargs["properties"].delivery_mode == 2
        assert kwargs["properties"].content_type == "application/json"
        connection.close.assert_called_once()

    @patch("shop_service.app.messaging.producer.pika.BlockingConnection")
    def test_broker_down_is_logged_not_raised(self, connection_cls):
        connection_cls.side_effect = pika.exceptions.AMQPConnectionError("refused")
        assert RabbitMQProducer("broker.local").publish("order.confirmed", {"order_id": 1}) is False

    @patch("shop_service.app.messaging.producer.pika.BlockingConnection")
    def test_connection_closed_after_failed_publish(self, connection_cls):
        connection = connection_cls.return_value
        connection.is_open = True
        connection.channel.return_value.basic_publish.side_effect = pika.exceptions.AMQPChannelError("gone")

        assert RabbitMQProducer("broker.local").publish("order.confirmed", {}) is False
        connection.close.assert_called_once()


class TestNullProducer:
    def test_drops_events(self):
        assert NullProducer().publish("order.confirmed", {"order_id": 1}) is False
