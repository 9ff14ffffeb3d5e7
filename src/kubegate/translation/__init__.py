"""Translation of declarative resources into proxy configuration."""
