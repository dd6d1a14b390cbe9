"""diskfoundry test suite."""
