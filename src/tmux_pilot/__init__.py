"""tmux-pilot: drive tmux panes from an MCP client."""

__version__ = "0.3.0"
