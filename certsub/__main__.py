from certsub.cli import main

main()
