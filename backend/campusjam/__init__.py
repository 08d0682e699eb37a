"""CampusJam backend: jam sessions, social graph and messaging."""
