"""Practicum - administration backend for a student internship program."""

__version__ = "0.1.0"
