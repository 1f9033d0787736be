from conversion_webhook.server import main

main()
