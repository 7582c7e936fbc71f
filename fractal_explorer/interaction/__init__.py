"""Gesture handling and the interaction controller."""
