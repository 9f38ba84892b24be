class TaskError(Exception):
    pass


class TaskValidationError(TaskError):
    pass


class TaskNotFound(TaskError):
    def __init__(self, task_id):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class InvalidTransition(TaskError):
    def __init__(self, status, action):
        super().__init__(f"Cannot {action} a task that is {status}")
        self.status = status
        self.action = action


class AuthError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
