from forecasts.cli import main

main()
