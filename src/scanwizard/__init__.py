"""ScanWizard: workflow validation for Black Duck security scan authoring."""

__version__ = "0.3.0"
