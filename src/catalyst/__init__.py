"""Catalyst - guided project-planning workflow.

This package provides the workflow core that walks a project from a raw idea
through brainstorming, research, architecture, data model, file layout,
design, API, security, agent rules and planning, down to an executable task
board and kickoff material.
"""

__version__ = "0.1.0"
