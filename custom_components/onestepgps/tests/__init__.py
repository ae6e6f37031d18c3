"""Tests for the OneStep GPS integration."""
