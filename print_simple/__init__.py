"""Dashboard aggregator for a small fleet of 3D printers."""
