"""Entry point for 'python -m formulabase' command.

This module allows the FormulaBase CLI to be invoked using
'python -m formulabase'.
"""

from formulabase.cli import main

if __name__ == "__main__":
    main()
