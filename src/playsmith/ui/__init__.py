"""User interfaces built on top of the playground pipeline."""
