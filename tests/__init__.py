"""Tests for GVC Keypad integration."""
