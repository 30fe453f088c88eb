"""Hi Town bot that posts the week's top Reddit posts to group chats."""

__version__ = "1.0.0"
