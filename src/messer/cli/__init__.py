"""Terminal interface: renderer, command dispatch, event routing and the REPL."""
