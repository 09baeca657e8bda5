from initializer.main import main

main()
