"""Push-channel protocol, transports and the connection manager."""
