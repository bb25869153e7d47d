"""Terminal client: API client, navigation controller and Textual app."""
