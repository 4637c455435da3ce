"""Email reminder for assistant sessions left waiting on input."""
