"""Formatters for Gherkin test-run results: progress, pretty, JUnit XML, Cucumber JSON and events."""

__version__ = "0.1.0"