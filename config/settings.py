"""Configuration settings for the barbershop agenda core."""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration from environment variables."""

    # Storage Configuration
    DATABASE_PATH: str = os.getenv('DATABASE_PATH', 'data/agenda.db')

    # Logging Configuration
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE: str = os.getenv('LOG_FILE', 'logs/agenda.log')

    # Reminder Configuration
    REMINDER_LEAD_HOURS: int = int(os.getenv('REMINDER_LEAD_HOURS', '24'))
    REMINDER_TITLE: str = os.getenv('REMINDER_TITLE', '📅 Lembrete de Agendamento')

    # Outbound Messaging Configuration
    COUNTRY_CODE: str = os.getenv('COUNTRY_CODE', '55')
    WHATSAPP_BASE_URL: str = os.getenv('WHATSAPP_BASE_URL', 'https://wa.me')

    @classmethod
    def validate(cls) -> bool:
        """Validate that the configuration is usable."""
        problems = []

        if not cls.DATABASE_PATH:
            problems.append('DATABASE_PATH is empty')
        if cls.REMINDER_LEAD_HOURS <= 0:
            problems.append('REMINDER_LEAD_HOURS must be positive')
        if not cls.COUNTRY_CODE.isdigit():
            problems.append('COUNTRY_CODE must contain digits only')

        if problems:
            print(f"ERROR: Invalid configuration: {', '.join(problems)}")
            return False

        return True

    @classmethod
    def to_dict(cls) -> dict:
        """Convert configuration to dictionary."""
        return {
            'DATABASE_PATH': cls.DATABASE_PATH,
            'LOG_LEVEL': cls.LOG_LEVEL,
            'LOG_FILE': cls.LOG_FILE,
            'REMINDER_LEAD_HOURS': cls.REMINDER_LEAD_HOURS,
            'REMINDER_TITLE': cls.REMINDER_TITLE,
            'COUNTRY_CODE': cls.COUNTRY_CODE,
            'WHATSAPP_BASE_URL': cls.WHATSAPP_BASE_URL,
        }


# Global config instance
config = Config()
