"""Drive Courier: WhatsApp bot that delivers new spreadsheets from watched folders."""

__version__ = "0.1.0"
