"""Session report metrics: extract and total call-session numbers from report emails."""
