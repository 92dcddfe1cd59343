"""ToDoToday core: recurrence, occurrence projection, local store and sync."""

__version__ = "0.1.0"
