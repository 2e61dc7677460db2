"""CMS page storage adapters."""
