"""StepQA — declarative, label-driven UI tests for web apps."""

__version__ = "0.1.0"
