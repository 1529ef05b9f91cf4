"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (the Figma HTTP API, the file
system, the console and the MCP stdio transport) by implementing the
interfaces defined in the domain layer.
"""
