"""Execution gateway for finished QueryObjects."""

from .gateway import Gateway, PostgresGateway

__all__ = ["Gateway", "PostgresGateway"]
