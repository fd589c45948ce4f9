"""mcollector: gauge and counter metrics server."""
