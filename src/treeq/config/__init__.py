"""Configuration — settings models, ``treeq.toml`` discovery, and logging."""
