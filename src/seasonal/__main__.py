from seasonal.main import main

main()
