"""Demo application for oauth2pg."""
