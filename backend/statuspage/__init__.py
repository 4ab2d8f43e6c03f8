"""StatusPage - public status pages with timeline downsampling and aggregate badges."""
