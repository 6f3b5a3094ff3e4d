"""branchflow - branching questionnaire flowcharts rendered as Mermaid."""

__version__ = "0.1.0"
