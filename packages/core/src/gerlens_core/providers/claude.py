from gerlens_core.providers.base import BaseTool


class ClaudeTool(BaseTool):
    NAME = "claude"

    def command(self) -> list[str]:
        # -p: print mode, reads the prompt from stdin and exits.
        return [self.NAME, "-p"]
