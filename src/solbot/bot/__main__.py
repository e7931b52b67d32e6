"""Entry point for running bot as module: python -m solbot.bot"""

# Load .env file before importing anything else
from dotenv import load_dotenv
load_dotenv()

from solbot.bot.bot import main

if __name__ == "__main__":
    main()
