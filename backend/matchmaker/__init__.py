"""Матчмейкинг по рейтингу и пересылка сообщений между соперниками."""
