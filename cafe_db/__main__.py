from cafe_db.app import main

main()
