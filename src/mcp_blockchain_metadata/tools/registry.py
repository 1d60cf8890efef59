"""Tool registry with auto-registration pattern."""

from mcp_blockchain_metadata.tools.base import BaseTool, ToolContext


class ToolRegistry:
    """
    Registry for query tool classes.

    Tools register themselves using the @ToolRegistry.register decorator.
    The server instantiates every registered class once per gateway.

    """

    _tools: dict[str, type[BaseTool]] = {}

    @classmethod
    def register(cls, tool_class: type[BaseTool]) -> type[BaseTool]:
        """
        Decorator to register a tool class.

        Parameters
        ----------
        tool_class : type[BaseTool]
            Tool class to register

        Returns
        -------
        type[BaseTool]
            The tool class (for decorator chaining)

        Examples
        --------
        >>> @ToolRegistry.register
        ... class PingTool(BaseTool):
        ...     name = "ping"

        """
        if not getattr(tool_class, "name", ""):
            msg = f"Tool {tool_class.__name__} must define 'name' attribute"
            raise ValueError(msg)

        cls._tools[tool_class.name] = tool_class
        return tool_class

    @classmethod
    def get_tool(cls, tool_name: str) -> type[BaseTool] | None:
        """
        Get tool class by name.

        Parameters
        ----------
        tool_name : str
            Tool name

        Returns
        -------
        type[BaseTool] | None
            Tool class or None if not found

        """
        return cls._tools.get(tool_name)

    @classmethod
    def list_tools(cls) -> list[str]:
        """Names of all registered tools."""
        return list(cls._tools.keys())

    @classmethod
    def create_tools(cls, context: ToolContext) -> dict[str, BaseTool]:
        """
        Instantiate every registered tool.

        Parameters
        ----------
        context : ToolContext
            Collaborators shared by the tools

        Returns
        -------
        dict[str, BaseTool]
            Tool instances keyed by name

        """
        return {name: tool_class(context) for name, tool_class in cls._tools.items()}

    @classmethod
    def unregister(cls, tool_name: str) -> None:
        """Remove a tool class (useful for testing)."""
        cls._tools.pop(tool_name, None)
