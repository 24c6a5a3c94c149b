"""
ToneScope - Main Entry Point

Example usage:
    python main.py path/to/clip.wav
    python main.py --play --config config/config.yaml path/to/clip.wav
"""

from tonescope.cli import main


if __name__ == "__main__":
    main()
