from gerlens_core.providers.base import BaseTool


class OpencodeTool(BaseTool):
    NAME = "opencode"

    def command(self) -> list[str]:
        return [self.NAME]
