class TrelloException(Exception):
    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors


class TrelloConfigException(TrelloException):
    def __init__(self, message, errors=None):
        super().__init__(message, errors)


class TrelloApiException(TrelloException):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class TrelloNotFoundException(TrelloApiException):
    def __init__(self, message):
        super().__init__(message, status_code=404)
