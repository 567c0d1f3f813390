"""Run the Upbit auto trader control surface."""

from upbit_autotrader.main import main

if __name__ == "__main__":
    main()
