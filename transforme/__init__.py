"""TransforMe Academy admin service."""
