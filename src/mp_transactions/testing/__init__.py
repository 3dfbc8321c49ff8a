"""Testing – fakes for unit tests of code built on mp_transactions."""
