class ServerError(Exception):
    """Fatal startup failure: the server never becomes ready.

    `desc` names the thing being worked on, `op` what was being done to it
    and `more` an optional detail, e.g. ("server", "start", "no free ports").
    """

    def __init__(self, desc: str, op: str, more: str | None = None, exit_code: int = 1) -> None:
        self.desc = desc
        self.op = op
        self.more = more
        self.exit_code = exit_code
        super().__init__(str(self))

    def __str__(self) -> str:
        msg = f"Failed to {self.op} {self.desc}"
        if self.more:
            msg += f": {self.more}"
        return msg + "."
