"""HTTP bridge between the UI layer and the auth core."""
