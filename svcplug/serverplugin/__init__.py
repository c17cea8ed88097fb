"""Server plugins: aliasing, IP filtering, rate limiting, tee, metrics and key-value service registration."""