"""Publish and consume JSON message events over a RabbitMQ bus."""

__version__ = "0.1.0"

__all__ = ["__version__"]