"""
Tool Registry for the CosmoDance chat assistant
Exposes the acquisition engine to the chat model as callable tools
"""
from typing import Any, Dict, List, Optional

from studio_engine import StudioEngine


class ToolRegistry:
    """Registry for all available tools"""

    def __init__(self, engine: StudioEngine):
        self.engine = engine

    def get_tools_schema(self) -> List[Dict[str, Any]]:
        """Return tool schemas as a flat list of function declarations."""
        branch_names = ", ".join(f"'{name}'" for name in self.engine.resolver.names)
        return [
            {
                "name": "get_schedule",
                "description": (
                    "Get the current class schedule of beginner-friendly groups at the studio. "
                    "USE THIS TOOL when users ask when classes take place, which groups exist "
                    "at a branch, or what they can join as a newcomer."
                ),
                "parameters": {
                    "type": "object",
                    "properties": {
                        "branch": {
                            "type": "string",
                            "description": f"Branch to filter by ({branch_names}); leave empty for all branches",
                        },
                    },
                    "required": [],
                },
            },
            {
                "name": "get_prices",
                "description": (
                    "Get current prices: memberships, single classes, trial class, discounts "
                    "and membership terms."
                ),
                "parameters": {
                    "type": "object",
                    "properties": {},
                    "required": [],
                },
            },
            {
                "name": "list_branches",
                "description": "List the studio branches (locations)",
                "parameters": {
                    "type": "object",
                    "properties": {},
                    "required": [],
                },
            },
        ]

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a tool call"""
        if tool_name == "get_schedule":
            return await self.get_schedule(arguments.get("branch"))
        elif tool_name == "get_prices":
            return await self.get_prices()
        elif tool_name == "list_branches":
            return self.list_branches()
        else:
            return {"error": f"Unknown tool: {tool_name}"}

    async def get_schedule(self, branch: Optional[str] = None) -> Dict[str, Any]:
        snapshot = await self.engine.get_schedule(branch or None)
        result = snapshot.to_dict()
        if branch and not snapshot.entries:
            result["note"] = (
                f"No branch matches '{branch}'. Known branches: "
                + ", ".join(self.engine.resolver.names)
            )
        if snapshot.is_fallback:
            result["note"] = (
                "Live schedule is unavailable; this is typical information. "
                f"Current schedule: {self.engine.config.schedule_url}"
            )
        return result

    async def get_prices(self) -> Dict[str, Any]:
        snapshot = await self.engine.get_prices()
        return snapshot.to_dict()

    def list_branches(self) -> Dict[str, Any]:
        return {"branches": self.engine.resolver.names}
