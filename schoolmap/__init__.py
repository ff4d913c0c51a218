"""Map schools and Local Authority District boundaries with folium."""

__version__ = "0.1.0"
