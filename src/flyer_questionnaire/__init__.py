"""Bee Flyer job-application questionnaire service."""

__version__ = "0.1.0"
