from typing import List


class TroncoError(Exception):
    """Base error, `code` mirrors the npm error codes callers match on."""
    code = "EUNKNOWN"


class ManifestParseError(TroncoError):
    code = "EJSONPARSE"

    def __init__(self, path: str, message: str = "Failed to parse package.json", detail: str = ""):
        super().__init__(message)
        self.path = path
        self.message = message
        self.detail = detail


class LsProblemsError(TroncoError):
    code = "ELSPROBLEMS"

    def __init__(self, problems: List[str]):
        super().__init__("\n".join(problems))
        self.problems = list(problems)
