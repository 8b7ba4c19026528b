"""Clients for external services: web pages, review platforms and LLM providers."""
