"""Shared configuration and types."""
