"""Tool-independent building blocks of the playground pipeline."""
