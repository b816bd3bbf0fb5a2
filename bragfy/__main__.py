from bragfy.bot import main

main()
