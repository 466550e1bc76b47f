"""Run the SBPL Print Service: python -m sbpl_print_service"""

from .app import main

if __name__ == '__main__':
    main()
