"""Test suite for recordbridge."""
