class MissingArgumentError(Exception):
    """
    Raised when a template references a placeholder absent from the arguments.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"missing sql query argument: {name}")
