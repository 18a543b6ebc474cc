class AppointmentValidationError(Exception):
    """One or more appointment fields failed validation.

    `errors` maps each failing field name to its messages.
    """

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        super().__init__(f"Invalid appointment fields: {', '.join(sorted(errors))}")
