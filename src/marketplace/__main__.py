from marketplace.app import create_app

if __name__ == "__main__":
    application = create_app()
    config = application.extensions["marketplace"]["config"]
    application.run(debug=config.app.debug, host=config.app.host, port=config.app.port)
