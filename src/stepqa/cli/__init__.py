"""StepQA command-line interface."""
