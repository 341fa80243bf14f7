"""Echo upstream used to exercise the key proxy."""
