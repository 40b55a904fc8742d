from gerlens_core.providers.base import BaseTool


class GeminiTool(BaseTool):
    NAME = "gemini"

    def command(self) -> list[str]:
        return [self.NAME]
