from browser_mcp.transport.discovery import DiscoveryFile, list_servers
from browser_mcp.transport.gateway import ExtensionGateway

__all__ = ["DiscoveryFile", "ExtensionGateway", "list_servers"]
