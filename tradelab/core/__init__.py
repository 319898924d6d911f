"""Shared data model and exceptions for tradelab."""
