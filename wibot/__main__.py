from wibot.main import main

main()
