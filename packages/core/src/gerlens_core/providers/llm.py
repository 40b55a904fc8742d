from gerlens_core.providers.base import BaseTool


class LlmTool(BaseTool):
    NAME = "llm"

    def command(self) -> list[str]:
        return [self.NAME]
