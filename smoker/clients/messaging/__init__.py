"""Message broker clients (MQTT and Kafka)."""

from smoker.clients.messaging.kafka import KafkaClient, KafkaMessage, KafkaRecordMetadata
from smoker.clients.messaging.mqtt import MqttClient

__all__ = ["KafkaClient", "KafkaMessage", "KafkaRecordMetadata", "MqttClient"]
