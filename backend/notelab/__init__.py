"""Note.Lab backend: auth, notes and categories REST API."""
