"""Core types, interfaces and utilities for lease election."""
