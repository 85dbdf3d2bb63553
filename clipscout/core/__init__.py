"""Platform-independent models, ranking and download stages."""
