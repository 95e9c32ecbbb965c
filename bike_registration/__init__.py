"""Bike registration workflow: stepper, schema, async step controllers and chat shell."""
