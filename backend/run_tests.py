# backend/run_tests.py
# Lance la suite de tests du moteur de jeu (variables de `backend/.env` chargées d'abord).

import os
import sys

import pytest
from dotenv import load_dotenv

BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))

if __name__ == "__main__":
    load_dotenv(dotenv_path=os.path.join(BACKEND_DIR, ".env"))

    # `linkguess` importable sans installation
    sys.path.insert(0, BACKEND_DIR)

    # Arguments supplémentaires transmis à pytest (ex. `-k leaderboard`)
    args = sys.argv[1:] or ["-v"]
    sys.exit(pytest.main([os.path.join(BACKEND_DIR, "tests"), *args]))
