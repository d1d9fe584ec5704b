"""Format adapters: GeoJSON and shapefile reading/writing."""
