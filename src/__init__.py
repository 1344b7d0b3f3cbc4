"""Random Raindrop Telegram Bot."""
