from savora import create_app

app = create_app()

if __name__ == '__main__':
    # Dashboards live in process memory, so run a single worker process
    app.run(host='0.0.0.0', port=int(app.config.get('PORT', 5000)), threaded=True)
