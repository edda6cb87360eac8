"""
Roster Backend Launcher
Starts the Flask backend for the academy roster service
"""
import sys
import os
import subprocess
from pathlib import Path
from dotenv import load_dotenv

def main():
    """Launch the Flask backend"""
    root_dir = Path(__file__).parent.absolute()
    load_dotenv(dotenv_path=root_dir / '.env')
    host = os.environ.get('ROSTER_HOST', '127.0.0.1')
    port = os.environ.get('ROSTER_PORT', '5000')
    os.environ['FLASK_APP'] = 'roster_backend.app:create_app'
    os.environ['FLASK_RUN_HOST'] = host
    os.environ['FLASK_RUN_PORT'] = port
    command = [sys.executable, '-m', 'flask', 'run', '--host', host, '--port', port]
    try:
        subprocess.run(command, check=True, cwd=root_dir)
    except subprocess.CalledProcessError as e:
        sys.exit(e.returncode)
if __name__ == '__main__':
    main()
