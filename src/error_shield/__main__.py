from error_shield.main import main

main()
