"""SecondBrain command-line interface."""
