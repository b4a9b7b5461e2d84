"""Client side of mailview: GTK-free services and GTK widgets."""
