"""CollabHub backend: contacts and collaborative projects."""
