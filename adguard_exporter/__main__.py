from adguard_exporter.main import main

main()
