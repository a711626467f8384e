from fshare_client import main

main()
