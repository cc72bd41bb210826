"""UI regression harness for the Rainyday Parents admin portal."""
