"""Report rendering: plain text for people, JSON for pipelines."""

from .text import closing_message, partition, render, verdict
